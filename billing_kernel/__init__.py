"""
Billing Kernel

Domain types, typed errors, logging and persistence for recurring
facility billing:
- Integer minor-unit Money
- Facility profiles, monthly overrides, seasonal rules
- Registry writes with a change log
- Read-only selectors that hand pure DTOs to the engines
"""

__version__ = "0.1.0"
