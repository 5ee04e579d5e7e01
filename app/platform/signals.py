"""
app/platform/signals.py
-----------------------
Signals sent after cart mutations.

Receivers own cache invalidation for the cart tag; senders only announce
that the cart changed.
"""
from blinker import Namespace

_signals = Namespace()

# sender: the CartActions instance; kwargs: cart_id, deleted (bool)
cart_updated = _signals.signal('cart-updated')
