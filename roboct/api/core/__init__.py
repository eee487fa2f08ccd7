"""Application core: configuration, logging, errors, wiring and scheduling."""
