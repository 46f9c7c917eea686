"""Enrichment core: data model, AI gateway, parsing and orchestration."""
