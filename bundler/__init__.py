"""Archive bundler: collect objects from a bucket into one zip and publish it."""

__version__ = "0.1.0"
