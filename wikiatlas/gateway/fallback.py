"""Bundled article archive served when the backend is unreachable."""

from __future__ import annotations

from datetime import datetime, timezone

from ..core.reconcile import reconcile_articles
from ..core.types import Article

_ARCHIVE: list[dict] = [
    {
        "id": "art-1",
        "title": "Kvant fizikasi: Borliqning sirli asosi",
        "content": (
            "Kvant fizikasi - bu tabiatning eng kichik miqyosdagi (atom va subatom darajadagi) "
            "xatti-harakatlarini o'rganadigan fan sohasi. Klassik fizika qonunlari bu darajada "
            "o'z kuchini yo'qotadi. Masalan, elektron bir vaqtning o'zida ikki joyda bo'lishi "
            "(superpozitsiya) yoki masofadan turib bir-biriga ta'sir qilishi (kvant chigalligi) "
            "mumkin. Ushbu soha nafaqat nazariy, balki zamonaviy texnologiyalar, jumladan kvant "
            "kompyuterlari va lazerlarning asosi hisoblanadi."
        ),
        "user_id": "system",
        "author_email": "olim@wikiatlas.uz",
        "category": "Fan",
        "language": "uz",
        "status": "published",
        "visibility": "public",
        "audience_tags": [],
    },
]


def archive_articles() -> list[Article]:
    """Return fresh copies of the archive, stamped with the current time."""
    now = datetime.now(timezone.utc).isoformat()
    return reconcile_articles({**row, "created_at": now} for row in _ARCHIVE)
