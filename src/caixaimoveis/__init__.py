"""Scraper for the Venda Imóveis Caixa property auction site."""

__version__ = "0.1.0"
