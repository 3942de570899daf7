"""sendlater - schedule chat messages for later delivery."""

__version__ = "0.1.0"
