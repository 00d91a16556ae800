"""
Git — Repository gateway interface and its git command-line backend.
"""

from .cli_gateway import GitCliGateway
from .gateway import RepositoryGateway

__all__ = ["GitCliGateway", "RepositoryGateway"]
