"""Configuration: process environment, CLI flags and logging."""
