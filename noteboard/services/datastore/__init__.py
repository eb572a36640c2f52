"""
Persistence for accounts, notes and the ban registry.

Each of :mod:`.accounts`, :mod:`.notes` and :mod:`.banned` exposes module
level functions that load and save domain objects. Writes accept
``commit=False`` so that several of them can share a transaction, e.g.

.. code-block:: python

   with transaction():
       accounts.save(account, commit=False)
       banned.save(entry, commit=False)

"""

from . import accounts, notes, banned
from .util import init_app, create_all, drop_all, transaction, \
    is_available, now
from .models import db
