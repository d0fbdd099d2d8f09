"""
AI Features App - Store assistant for the POS console
Answers customer and operator questions grounded in the store's own catalog.
"""
