"""Rule expression evaluation and rule classification."""
