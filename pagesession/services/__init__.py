"""Service integrations for the page session."""
