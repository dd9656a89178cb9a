"""Infrastructure layer: settings, logging, HTTP adapters and wiring."""
