"""Infrastructure layer: settings, storage and process execution."""
