"""
Contact import feature: rules, template and persistence.
"""

from contact_import.contacts.rules import CONTACT_CSV_RULES, CONTACT_CSV_TEMPLATE

__all__ = ["CONTACT_CSV_RULES", "CONTACT_CSV_TEMPLATE"]
