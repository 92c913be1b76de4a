"""
TSA Songbook Editor - Internal editing tool for the Marathi Salvation Army song book.

A single FastAPI service over an SQLite song store with a verification lock,
full-songbook JSON import (atomic replace) and export.
"""
