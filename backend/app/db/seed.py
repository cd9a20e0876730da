from __future__ import annotations

import logging

from backend.app.core.config import settings
from backend.app.core.logging import setup_logging
from backend.app.db.session import SessionLocal
from backend.services.catalog import add_color, load_vocabulary
from backend.services.fulfillment import get_card_fees

logger = logging.getLogger(__name__)

# Vocabulaire de couleurs de départ (sert aussi au FamilyResolver)
PREDEFINED_COLORS = (
    ("Branco", "#FFFFFF"),
    ("Preto", "#000000"),
    ("Cinza", "#808080"),
    ("Vermelho", "#FF0000"),
    ("Vinho", "#722F37"),
    ("Azul", "#0000FF"),
    ("Azul Marinho", "#000080"),
    ("Azul Claro", "#ADD8E6"),
    ("Verde", "#008000"),
    ("Verde Musgo", "#8A9A5B"),
    ("Verde Claro", "#90EE90"),
    ("Amarelo", "#FFFF00"),
    ("Mostarda", "#FFDB58"),
    ("Laranja", "#FFA500"),
    ("Terracota", "#E2725B"),
    ("Roxo", "#800080"),
    ("Rosa", "#FFC0CB"),
    ("Marrom", "#A52A2A"),
    ("Bege", "#F5F5DC"),
)


def run_seed(db=None):
    own_session = db is None
    db = db or SessionLocal()
    try:
        # 1) Couleurs : on n'écrase pas un hex modifié à la main
        known = {c.name for c in load_vocabulary(db)}
        for name, hex_code in PREDEFINED_COLORS:
            if name not in known:
                add_color(db, name, hex_code)

        # 2) Frais carte par défaut (ligne unique id=1)
        get_card_fees(db)
        db.commit()

        logger.info("Seed OK: %s colour(s), card fees", len(PREDEFINED_COLORS))
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    setup_logging(settings.log_level)
    run_seed()
