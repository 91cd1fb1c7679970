"""Review orchestration core for ailinter."""
