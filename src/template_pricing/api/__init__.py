"""API subpackage - FastAPI surface for the quoting and settings screens."""
