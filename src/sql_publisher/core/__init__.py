"""Query-to-JSON engine and its collaborators."""
