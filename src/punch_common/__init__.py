"""Shared pieces of the UDP hole-punching rendezvous protocol.

- ``wire`` define o formato texto dos datagramas trocados entre cliente,
  servidor e peers.
- ``log`` configura o logging dos executáveis.
"""
