"""HTTP API for SmartClause."""
