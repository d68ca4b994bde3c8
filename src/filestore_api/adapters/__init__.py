"""
Adapter layer for the file store API.

Contains the directory-backed file store and the thumbnail task handoff.
"""
