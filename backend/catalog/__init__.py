"""Storefront product catalog service."""
