"""Credential issuance service: account registration, login, and bearer tokens."""
