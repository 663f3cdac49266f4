"""Usage events domain fakes for testing."""
