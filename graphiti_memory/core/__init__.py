"""Core components: transports, normalization and profile strategies."""
