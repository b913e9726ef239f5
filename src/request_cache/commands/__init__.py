"""Built-in CLI commands registered by :func:`request_cache.app.register_commands`."""
