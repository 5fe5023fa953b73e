"""Subject colours and lookup."""

import pytest

from studyplan.services.subjects import PALETTE, create_subject, find_or_create_subject, palette_color


class TestPaletteColor:
    @pytest.mark.parametrize(
        "name, color",
        [
            ("Math", "#ef4444"),
            # Surrogate pair: hashed as two UTF-16 units, not one code point
            ("\N{GRINNING FACE}", "#84cc16"),
            ("", "#6366f1"),
        ],
    )
    def test_known_colours(self, name, color):
        assert palette_color(name) == color

    def test_long_names_stay_in_palette(self):
        name = "Advanced Quantum Field Theory and Statistical Mechanics " * 20
        assert palette_color(name) in PALETTE
        assert palette_color(name) == palette_color(name)


class TestSubjects:
    async def test_created_with_palette_colour(self, store, user):
        subject = await create_subject(store, user.id, "Math")
        assert subject.color == "#ef4444"

    async def test_match_is_case_insensitive(self, store, user):
        physics = await create_subject(store, user.id, "Physics")
        assert (await find_or_create_subject(store, user.id, "  physics ")).id == physics.id
