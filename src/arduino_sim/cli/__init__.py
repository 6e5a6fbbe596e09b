"""
Arduino Simulator Command-Line Interface
=======================================

- **ardsim run**: run a sketch (or a built-in template) for a while,
  printing the event log and pin changes
- **ardsim transpile**: print the Python generated for a sketch
- **ardsim templates**: list or print the built-in sketches
"""

__all__ = ["ardsim"]
