"""
Identifiants de commande lisibles, triables dans le temps.

Format: ORD-<26 caractères Crockford base32>, disposition ULID:
48 bits de millisecondes Unix + 80 bits aléatoires (secrets).
Deux ids générés dans la même milliseconde ne collisionnent qu'avec une
probabilité de 2^-80; l'index unique payments.order_id reste le garde-fou.
"""
import secrets
import time

_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
PREFIX = "ORD-"

def _encode(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        value, rem = divmod(value, 32)
        chars.append(_ALPHABET[rem])
    return "".join(reversed(chars))

def new_order_id(now_ms: int | None = None) -> str:
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    ms &= (1 << 48) - 1
    rand = secrets.randbits(80)
    return PREFIX + _encode(ms, 10) + _encode(rand, 16)

