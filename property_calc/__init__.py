"""Property investment calculator: loans, projections and portfolios."""
