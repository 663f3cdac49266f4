"""Usage events domain: append-only usage log, batch claims and their lifecycle."""
