"""
Session and protocol core: transport, handshake, codec, session store,
dispatcher, transaction coordinator and swap-quote extraction.
"""
