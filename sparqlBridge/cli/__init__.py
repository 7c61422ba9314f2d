"""Click command line interface."""
