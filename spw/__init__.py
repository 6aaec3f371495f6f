"""Stuck Pod Watchdog (SPW).

Small reconciliation loop that keeps an eye on the pods of one namespace and
nudges the ones that wedge:
 - classify each pod as healthy or stuck (image pulls, crash loops, not ready)
 - remember when a pod was first seen stuck
 - after a grace period, recreate it (or notify someone else to)

Detection state lives in memory only; a restart simply starts counting again.
"""
