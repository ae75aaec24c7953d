"""catalog/ -- Authors, publishers, and books.

Layer rule: catalog/ imports from core/ and auth/ only. rentals/ and api/
import from catalog/, not the other way around.
"""
