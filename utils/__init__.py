"""
Utility helpers: login codes, user directory, mail, validation
"""
