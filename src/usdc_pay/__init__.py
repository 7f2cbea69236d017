"""
Core package for usdc_pay providing USDC payment tools over Base and Solana.
"""

from .server import PaymentToolServer  # noqa: F401
from .tools import PaymentTools  # noqa: F401
