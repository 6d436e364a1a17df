"""HTTP service for temporary document and image transformations."""
