"""Seed data the store starts from and returns to on reset."""
from __future__ import annotations

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

from ..auth.passwords import hash_password
from .models import (
    Banner,
    Business,
    Category,
    City,
    Merchant,
    Payment,
    Province,
    Subcategory,
)

SEED_PASSWORD = "password123"
ADMIN_PASSWORD = "admin123"

PROVINCES = [
    ("02", "Ciudad Autónoma de Buenos Aires"),
    ("06", "Buenos Aires"),
    ("10", "Catamarca"),
    ("14", "Córdoba"),
    ("18", "Corrientes"),
    ("22", "Chaco"),
    ("26", "Chubut"),
    ("30", "Entre Ríos"),
    ("34", "Formosa"),
    ("38", "Jujuy"),
    ("42", "La Pampa"),
    ("46", "La Rioja"),
    ("50", "Mendoza"),
    ("54", "Misiones"),
    ("58", "Neuquén"),
    ("62", "Río Negro"),
    ("66", "Salta"),
    ("70", "San Juan"),
    ("74", "San Luis"),
    ("78", "Santa Cruz"),
    ("82", "Santa Fe"),
    ("86", "Santiago del Estero"),
    ("90", "Tucumán"),
    ("94", "Tierra del Fuego, Antártida e Islas del Atlántico Sur"),
]

CITIES = [
    ("c1", "CABA", "02"),
    ("060364", "La Plata", "06"),
    ("060357", "Mar del Plata", "06"),
    ("c4", "Córdoba Capital", "14"),
    ("c5", "Villa Carlos Paz", "14"),
    ("c6", "Rosario", "82"),
    ("c7", "Santa Fe Capital", "82"),
    ("c8", "Mendoza Capital", "50"),
    ("c9", "San Rafael", "50"),
]

CATEGORIES = [
    ("r1", "Gastronomía", "🍔"),
    ("r2", "Indumentaria", "👕"),
    ("r3", "Tecnología", "💻"),
    ("r4", "Servicios", "🛠️"),
    ("r5", "Turismo", "✈️"),
]

SUBCATEGORIES = [
    ("sr1", "Pizzerías", "r1"),
    ("sr2", "Cafeterías", "r1"),
    ("sr3", "Ropa de mujer", "r2"),
    ("sr4", "Ropa deportiva", "r2"),
    ("sr5", "Celulares y accesorios", "r3"),
    ("sr6", "Plomería", "r4"),
    ("sr7", "Electricidad", "r4"),
    ("sr8", "Excursiones", "r5"),
]

MERCHANTS = [
    ("u0", "Administrador", "admin@guiacomercial.com", None),
    ("u1", "Juan Perez", "juan.perez@example.com", "1122334455"),
    ("u2", "Maria Gomez", "maria.gomez@example.com", "3512233445"),
    ("u3", "Carlos Lopez", "carlos.lopez@example.com", None),
    ("u4", "Ana Fernandez", "ana.fernandez@example.com", "2212233445"),
    ("u5", "Luis Martinez", "luis.martinez@example.com", None),
    ("u6", "Sofia Rodriguez", "sofia.rodriguez@example.com", None),
]

# (id, name, category, subcategory, province, city, neighborhood, owner, tier, expires in days, lat, lon)
BUSINESSES: list[tuple[Any, ...]] = [
    ("co1", "La Pizzería de Juan", "r1", "sr1", "02", "c1", "Balvanera", "u1", 6, 30, -34.6037, -58.3816),
    ("co2", "Boutique María", "r2", "sr3", "14", "c4", "Nueva Córdoba", "u2", 4, 30, -31.4201, -64.1888),
    ("co3", "Tech Shop", "r3", "sr5", "82", "c6", None, "u3", 1, None, None, None),
    ("co4", "Plomero 24hs", "r4", "sr6", "06", "060364", "Tolosa", "u4", 2, 30, -34.9214, -57.9545),
    ("co5", "Excursiones Mendoza", "r5", "sr8", "50", "c8", None, "u5", 5, 30, -32.8895, -68.8458),
    ("co6", "Café de la Plaza", "r1", "sr2", "14", "c5", "Centro", "u6", 3, 5, -31.4241, -64.4978),
    ("co7", "Ropa Deportiva SF", "r2", "sr4", "82", "c7", None, "u1", 1, None, None, None),
    ("co8", "Electricista City Bell", "r4", "sr7", "06", "060364", "City Bell", "u4", 1, None, None, None),
]

DESCRIPTIONS = {
    "co1": "La mejor pizza de la ciudad, con ingredientes frescos y horno de barro.",
    "co2": "Ropa de diseño exclusivo para mujeres modernas.",
    "co4": "Servicio de plomería y gasista matriculado. Urgencias las 24 horas.",
    "co6": "Café de especialidad y pastelería casera frente a la plaza principal.",
}

GALLERIES = {
    "co1": [
        "https://picsum.photos/800/600?random=11",
        "https://picsum.photos/800/600?random=12",
        "https://picsum.photos/800/600?random=13",
    ],
    "co2": ["https://picsum.photos/800/600?random=21"],
    "co5": [
        "https://picsum.photos/800/600?random=51",
        "https://picsum.photos/800/600?random=52",
    ],
}


@lru_cache(maxsize=None)
def _seed_hash(plain: str) -> str:
    # Every reset reuses the same hashes.
    return hash_password(plain)


def seed_collections(now: datetime) -> dict[str, list[Any]]:
    """Build a fresh copy of every seeded collection relative to ``now``."""
    provinces = [Province(id=i, name=n) for i, n in PROVINCES]
    cities = [City(id=i, name=n, province_id=p) for i, n, p in CITIES]
    province_names = {p.id: p.name for p in provinces}
    city_names = {c.id: c.name for c in cities}

    merchants = [
        Merchant(
            id=uid,
            name=name,
            email=email,
            phone=phone,
            is_verified=True,
            password_hash=_seed_hash(ADMIN_PASSWORD if uid == "u0" else SEED_PASSWORD),
        )
        for uid, name, email, phone in MERCHANTS
    ]

    businesses = []
    for idx, (bid, name, cat, sub, prov, city, hood, owner, tier, days, lat, lon) in enumerate(
        BUSINESSES, start=1
    ):
        businesses.append(
            Business(
                id=bid,
                name=name,
                image_url=f"https://picsum.photos/400/300?random={idx}",
                category_id=cat,
                subcategory_id=sub,
                province_id=prov,
                province_name=province_names[prov],
                city_id=city,
                city_name=city_names[city],
                neighborhood=hood,
                owner_id=owner,
                whatsapp=f"54911{idx:08d}",
                description=DESCRIPTIONS.get(bid),
                gallery=list(GALLERIES.get(bid, [])),
                ad_tier=tier,
                ad_expires_at=now + timedelta(days=days) if days is not None else None,
                lat=lat,
                lon=lon,
            )
        )

    return {
        "provinces": provinces,
        "cities": cities,
        "categories": [Category(id=i, name=n, icon=ic) for i, n, ic in CATEGORIES],
        "subcategories": [Subcategory(id=i, name=n, category_id=c) for i, n, c in SUBCATEGORIES],
        "merchants": merchants,
        "businesses": businesses,
        "banners": [
            Banner(id="b1", business_id="co2", image_url="https://picsum.photos/800/200?random=10",
                   expires_at=now + timedelta(days=30)),
            Banner(id="b2", business_id="co5", image_url="https://picsum.photos/800/200?random=11",
                   expires_at=now + timedelta(days=30)),
            Banner(id="b3", business_id="co1", image_url="https://picsum.photos/800/200?random=12",
                   expires_at=now - timedelta(days=5)),
        ],
        "payments": [
            Payment(id="pay1", business_id="co2", amount=5000, date=now, provider_reference="mp123", tier=4),
        ],
    }
