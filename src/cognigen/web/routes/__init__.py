"""Route factories for the cognigen HTTP API."""
