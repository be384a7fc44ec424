"""Credential lifecycle: access token minting, refresh rotation, account workflows."""
