"""Domain models, ports, services and use cases; no HTTP here."""
