"""auth/ -- Authentication and identity resolution for the library backend.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, catalog/, or rentals/.
api/ imports from auth/, not the other way around.
"""
