"""Homebound: keeps a world agent patrolling home and sleeping only when it should."""
