"""Synthetic display names for anonymised account records."""

from __future__ import annotations

import random
from typing import Callable

GIVEN_NAMES = (
    "Abigail", "Adrian", "Alice", "Amir", "Anika", "Arthur", "Beatrice", "Benedict",
    "Bianca", "Caleb", "Camille", "Cedric", "Clara", "Dalia", "Damian", "Delphine",
    "Desmond", "Edith", "Elias", "Elodie", "Emmett", "Esther", "Farah", "Felix",
    "Fiona", "Gideon", "Greta", "Hamish", "Harriet", "Hugo", "Imogen", "Ingrid",
    "Isaac", "Ivy", "Jasper", "Josephine", "Jude", "Kamala", "Kendrick", "Lachlan",
    "Leona", "Lucian", "Mabel", "Malik", "Marisol", "Milo", "Nadia", "Nico",
    "Noemi", "Octavia", "Orson", "Pascal", "Penelope", "Quentin", "Rafael", "Rosalind",
    "Rupert", "Sabine", "Silas", "Soren", "Tabitha", "Thaddeus", "Ursula", "Valentin",
    "Vera", "Wallace", "Wren", "Xavier", "Yara", "Yusuf", "Zelda", "Zoran",
)

NameGenerator = Callable[[], str]


def make_name_generator(seed: int | None = None, words: int = 2) -> NameGenerator:
    """Return a generator of capitalised, space-separated fake names.

    Names carry no meaning and must never be used as keys. Passing a seed makes
    the sequence reproducible.
    """
    rng = random.Random(seed)

    def generate() -> str:
        return " ".join(rng.choice(GIVEN_NAMES).capitalize() for _ in range(words))

    return generate
