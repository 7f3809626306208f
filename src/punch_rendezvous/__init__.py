"""Rendezvous server for UDP hole punching.

- ``models`` descreve o ``PeerRecord`` mantido pelo servidor.
- ``peer_db`` guarda o diretório limitado de peers e faz a varredura de TTL.
- ``request_handler`` interpreta os comandos e casa pedidos de conexão.
- ``server`` contém o loop UDP de recepção.
- ``config`` e ``main`` tratam configuração e linha de comando.
"""
