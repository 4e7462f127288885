"""AE task tracker: REST client, snapshot store and task logic."""

__version__ = "0.1.0"
