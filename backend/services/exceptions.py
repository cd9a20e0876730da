"""Erreurs métier du cœur stock / ventes."""

from __future__ import annotations


class DomainError(Exception):
    """Base de toutes les erreurs métier (traduites en HTTP par les endpoints)."""


class ProductNotFound(DomainError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class VariationNotFound(DomainError):
    def __init__(self, product_id: str, size: str):
        self.product_id = product_id
        self.size = size
        super().__init__(f"Product {product_id} has no variation {size}")


class SaleRequestNotFound(DomainError):
    def __init__(self, sale_request_id: str):
        self.sale_request_id = sale_request_id
        super().__init__(f"Sale request {sale_request_id} not found")


class ProductNameConflict(DomainError):
    """
    Nom déjà utilisé (comparaison insensible à la casse) par un autre produit.
    Erreur de validation à l'enregistrement : bloque la sauvegarde, ne touche pas au stock.
    """

    def __init__(self, name: str, existing_product_id: str):
        self.name = name
        self.existing_product_id = existing_product_id
        super().__init__(f'A product named "{name}" already exists ({existing_product_id})')


class InvalidQuantity(DomainError):
    def __init__(self, quantity: int, detail: str = "quantity must be >= 0"):
        self.quantity = quantity
        super().__init__(f"Invalid quantity {quantity}: {detail}")


class VariationInUse(DomainError):
    """Taille encore référencée par un pedido pending : la supprimer bloquerait sa conclusion."""

    def __init__(self, product_id: str, size: str, sale_request_ids: list[str]):
        self.product_id = product_id
        self.size = size
        self.sale_request_ids = sale_request_ids
        super().__init__(
            f"Variation {size} of product {product_id} is used by pending sale request(s) "
            f"{', '.join(sale_request_ids)}"
        )
