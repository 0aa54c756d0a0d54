"""
Travel journal backend.

A FastAPI service where users register, sign in with bearer tokens and keep
a private collection of travel stories with photos, favourites, search and
date-range filtering.
"""
