"""Circulapp - backend de l'economie circulaire / circular economy backend."""
