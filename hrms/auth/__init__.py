"""Auth module — provider-token sessions, role model and access guard."""
