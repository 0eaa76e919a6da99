"""Backend de la marketplace de cours: panier, commandes, paiements, inscriptions."""
