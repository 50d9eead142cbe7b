"""Discrete-event simulation of a redundant wide-area network.

Sites are connected by point-to-point links and carry primary and backup static
routes; packets are forwarded over whichever candidate route is still usable
when they are sent.
"""
