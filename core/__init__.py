"""Platform-neutral models, configuration and logging for the HTTP bridge."""
