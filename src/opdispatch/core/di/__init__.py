"""
Dependency registry and resolver.
"""

from .container import Container
from .resolver import DependencyResolver, Requirement, requirements_of

__all__ = ["Container", "DependencyResolver", "Requirement", "requirements_of"]
