"""rentals/ -- Checkout, return, and rental history.

Layer rule: rentals/ imports from core/, auth/, and catalog/. It does NOT
import from api/.
"""
