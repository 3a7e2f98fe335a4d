"""Command-line interface modules for cognigen."""
