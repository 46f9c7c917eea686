"""
brewpress - AI enrichment for pending WordPress news posts

Pulls pending posts from a WordPress site, analyzes and classifies them with a
generative-AI model, resolves a missing cover image and writes the enriched
post back as a draft or a published article.
"""

__version__ = "0.1.0"
