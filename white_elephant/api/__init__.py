"""
HTTP service exposing one shared game.
"""
