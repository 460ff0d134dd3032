"""Mission Control dashboard: JSON API routers, settings and the web UI."""
