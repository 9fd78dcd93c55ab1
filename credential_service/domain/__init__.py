"""Account domain model, contracts, errors, and the authentication service."""
