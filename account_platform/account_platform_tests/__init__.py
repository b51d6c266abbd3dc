"""
Tests for the account service: stores, service rules, tokens, auth gate and
the HTTP surface.
"""
