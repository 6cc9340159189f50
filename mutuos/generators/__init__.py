"""Sample data generators."""

from mutuos.generators.contract import ContractGenerator

__all__ = ["ContractGenerator"]
