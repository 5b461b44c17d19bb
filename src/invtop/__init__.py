"""invtop - live process, CPU and unit inventory."""

__version__ = "0.1.0"
