"""Core types and configuration for flowsync."""
