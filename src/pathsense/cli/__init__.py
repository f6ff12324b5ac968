"""PathSense command-line interface."""
