"""Núcleo del protocolo: direcciones derivadas, codec binario y envío de transacciones.

English:
    Protocol core: derived addresses, binary codec, and transaction submission.
"""
