"""Authentication: credentials, access tokens, revocation and roles."""
