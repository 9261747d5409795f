"""Domain layer for the Relocation Portal.

This package centralizes business rules: subscription tiers, entitlement
policy and checklist content rules.
It is intentionally framework-agnostic: domain logic should be testable without Flask.
"""
