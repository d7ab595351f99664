"""Runtime configuration: environment settings and logging preset."""
