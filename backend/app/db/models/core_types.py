import enum


class StoreName(str, enum.Enum):
    teca = "Têca"
    ione = "Ione Decor"


class CushionSize(str, enum.Enum):
    square_40 = "40x40"
    square_45 = "45x45"
    square_50 = "50x50"
    square_60 = "60x60"
    lumbar = "Lombar (25x45)"


class ItemType(str, enum.Enum):
    cover = "cover"
    full = "full"


class SaleStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class SaleType(str, enum.Enum):
    sale = "sale"
    preorder = "preorder"


class PaymentMethod(str, enum.Enum):
    pix = "PIX"
    debit = "Débito"
    credit = "Crédito"
    card_online = "Cartão (Online)"
    whatsapp = "WhatsApp (Encomenda)"
    cash = "Dinheiro"


class MovementType(str, enum.Enum):
    sale = "SALE"
    adjustment = "ADJUSTMENT"


class WaterResistance(str, enum.Enum):
    none = "none"
    semi = "semi-impermeavel"
    full = "waterblock"


# Prix par défaut d'une nouvelle variation (capa / cheia)
VARIATION_DEFAULTS: dict[CushionSize, tuple[float, float]] = {
    CushionSize.square_40: (20, 35),
    CushionSize.square_45: (35, 45),
    CushionSize.square_50: (40, 50),
    CushionSize.square_60: (60, 80),
    CushionSize.lumbar: (20, 25),
}
