"""Business logic services.

Modules are imported directly (``hours_bank.services.ledger_calculator``);
the schemas import the duration helpers from here, so this package
imports nothing on its own.
"""
