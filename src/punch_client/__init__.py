"""Client runtime package for UDP hole punching.

Módulos do cliente:
- ``config`` carrega parâmetros de arquivo JSON e da linha de comando.
- ``state`` modela a sessão única (estado, peer, canal estabelecido).
- ``rendezvous_connection`` envia REGISTER/REQUEST/KEEPALIVE/UNREGISTER.
- ``message_router`` aplica os datagramas recebidos à sessão.
- ``hole_punch`` dispara as rajadas de sondas PUNCH.
- ``keep_alive`` mantém o registro vivo no servidor.
- ``p2p_client`` contém o loop de eventos single-thread.
- ``cli`` interpreta as linhas digitadas.
"""
