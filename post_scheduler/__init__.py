"""post-scheduler: timezone-aware scheduled post publishing."""

__version__ = "0.1.0"
