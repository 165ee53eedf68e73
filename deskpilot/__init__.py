"""DeskPilot: an autonomous perceive-decide-act desktop agent."""

__version__ = "0.1.0"
