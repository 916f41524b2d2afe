"""Folio API: organizations, memberships and access-controlled documents."""
