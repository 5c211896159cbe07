"""
Controllers Package

Flask blueprints exposing the match, matchmaking and player endpoints.
"""
