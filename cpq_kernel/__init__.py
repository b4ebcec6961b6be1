"""
CPQ Kernel - pricing domain for hardware-integration quotations.

A pure, replayable calculation core with:
- Original-currency preservation for components and quotation items
- Decimal-only money arithmetic with explicit rounding
- Typed, code-carrying exceptions
- Structured JSON logging
"""

__version__ = "0.1.0"
