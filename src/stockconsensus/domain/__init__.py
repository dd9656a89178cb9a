"""Domain layer: models, ports, services and error taxonomy."""
