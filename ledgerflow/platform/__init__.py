"""Process-level runtimes: Temporal worker, job consumers, control server."""
