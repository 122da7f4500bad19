"""HTTP intake that submits notification requests to the dispatch engine."""
