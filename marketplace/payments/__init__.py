"""
Module 'payments' (feature-first): validation d'éligibilité, paiement carte (Stripe),
virement avec justificatif, revue admin et réconciliation.
"""
