"""cognigen: generation orchestration pipeline.

Turns natural-language or structured application requests into generated
source components, scoring and recording each run.
"""

__version__ = "0.1.0"
