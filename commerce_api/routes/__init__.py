"""
Routes de l'application
v1: enveloppe {ok, data}; checkout / accounting / transactions: enveloppe historique
"""
