"""Clinic app: staff identity, scoped clinical records, lab and billing."""
