"""Web API module."""
