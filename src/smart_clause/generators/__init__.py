"""Clause generation."""

from .clause_generator import ClauseGenerator, GeneratedClause

__all__ = ["ClauseGenerator", "GeneratedClause"]
