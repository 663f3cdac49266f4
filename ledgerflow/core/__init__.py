"""Cross-cutting infrastructure: configuration, logging, errors, DI, saga."""
