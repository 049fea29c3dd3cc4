"""
Session authorization service.

Decides whether the bearer of an identity token may access a proposal or a
single visit within it.
"""
