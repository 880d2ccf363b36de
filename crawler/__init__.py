"""Catalog crawler: fetchers, field extraction, site profiles and pipelines."""
