"""Document operations backend: page ranges and structural PDF edits."""
