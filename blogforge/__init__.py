"""Blogforge: brand-grounded blog generation and content planning service."""
