import os

# pygame must never open a real window or audio device under test
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest


@pytest.fixture
def surface():
    """A 64x32 RGBA surface with a red left half and a blue right half."""
    pygame.init()
    surf = pygame.Surface((64, 32), pygame.SRCALPHA)
    surf.fill((255, 0, 0, 255), pygame.Rect(0, 0, 32, 32))
    surf.fill((0, 0, 255, 255), pygame.Rect(32, 0, 32, 32))
    return surf
