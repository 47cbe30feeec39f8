"""Vocabulary Center storefront backend."""
