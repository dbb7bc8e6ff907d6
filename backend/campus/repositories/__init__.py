from campus.repositories.repository import Repository, ScopedLookup

__all__ = ["Repository", "ScopedLookup"]
