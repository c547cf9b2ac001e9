"""Cliente de votación de una sola pregunta para un programa Anchor en Solana.

English:
    Single-question voting client for an Anchor program on Solana.
"""

__version__ = "0.1.0"
