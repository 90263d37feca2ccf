import pytest
from PIL import ImageFont, features


@pytest.fixture(scope="session")
def default_font():
    """Pillow's bundled scalable font; skips when FreeType support is missing."""
    if not features.check("freetype2"):
        pytest.skip("Pillow built without FreeType")
    font = ImageFont.load_default(size=20)
    if not isinstance(font, ImageFont.FreeTypeFont):
        pytest.skip("Pillow default font is not scalable")
    return font
