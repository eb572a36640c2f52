"""
A shared note board.

Users place notes on a board and choose who may see them: only themselves,
some named users, or everyone. Administrators can ban accounts and email
addresses. :mod:`noteboard.accounts` and :mod:`noteboard.visibility` hold
the rules; :mod:`noteboard.factory` builds the web application around them.
"""
