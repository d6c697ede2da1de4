"""Runner for small compile-and-test exercises: verify, watch, run, list and grade them."""

__version__ = "5.5.1"