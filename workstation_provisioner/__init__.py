"""Workstation provisioner (Python-first, state-driven).

Core design goals:
- Linear, fail-fast steps with resumable state
- Third-party repositories registered with scoped signing keys
- Every command and decision logged
"""

__all__ = []
