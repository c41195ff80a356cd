"""Configuration, logging, seeding and serialization helpers."""
