# renderer.py

import colorsys
import pygame
import constants


def hue_to_rgb(hue: float, saturation: float = constants.SATURATION, value: float = constants.VALUE):
    """Converts a hue in degrees to an 8-bit RGB tuple."""
    r, g, b = colorsys.hsv_to_rgb((hue % 360.0) / 360.0, saturation, value)
    return (int(r * 255), int(g * 255), int(b * 255))


class Renderer:
    """
    Draws one FrameResult: a fading trail, connection lines, glowing
    particles, and the text overlay. Reads simulation output only.
    """
    def __init__(self, screen: pygame.Surface):
        self.screen = screen
        self.font = pygame.font.Font(None, constants.OVERLAY_FONT_SIZE)
        self._resize_surfaces(screen.get_size())

    def _resize_surfaces(self, size):
        self.size = size
        self.trail_surface = pygame.Surface(size, pygame.SRCALPHA)
        self.effects_surface = pygame.Surface(size, pygame.SRCALPHA)

    def resize(self, screen: pygame.Surface):
        self.screen = screen
        self._resize_surfaces(screen.get_size())

    def draw(self, frame, repulsion_mode: bool, fps: float):
        # Trail: darken the previous frame instead of clearing it
        self.trail_surface.fill(constants.TRAIL_EFFECT_COLOR)
        self.screen.blit(self.trail_surface, (0, 0))

        self.effects_surface.fill((0, 0, 0, 0))
        self._draw_connections(frame.connections)
        self._draw_particles(frame.particles)
        self.screen.blit(self.effects_surface, (0, 0))

        self._draw_overlay(frame.particle_count, repulsion_mode, fps)

    def _draw_connections(self, connections):
        for connection in connections:
            color = (*hue_to_rgb(connection.hue), int(connection.alpha * 255))
            start = (int(connection.source.position[0]), int(connection.source.position[1]))
            end = (int(connection.target.position[0]), int(connection.target.position[1]))
            pygame.draw.line(self.effects_surface, color, start, end, max(1, round(connection.weight)))

    def _draw_particles(self, particles):
        for state in particles:
            rgb = hue_to_rgb(state.hue)
            center = (int(state.x), int(state.y))
            for size_factor, alpha in constants.GLOW_LAYERS:
                radius = max(1, int(state.size * size_factor / 2))
                pygame.draw.circle(self.effects_surface, (*rgb, alpha), center, radius)
            core_radius = max(1, int(state.size * constants.CORE_SIZE_FACTOR / 2))
            pygame.draw.circle(self.effects_surface, (*rgb, 255), center, core_radius)

    def _draw_overlay(self, particle_count: int, repulsion_mode: bool, fps: float):
        x, y, w, h = constants.OVERLAY_RECT
        panel = pygame.Surface((w, h), pygame.SRCALPHA)
        pygame.draw.rect(panel, constants.OVERLAY_COLOR, panel.get_rect(), border_radius=10)
        self.screen.blit(panel, (x, y))

        lines = [
            f"Click and drag: {'Repel' if repulsion_mode else 'Attract'} particles",
            "Press 'R' to toggle between attract/repel modes",
            "Press 'A' to add particles, 'D' to remove",
            f"Particles: {particle_count} | FPS: {fps:.1f}",
        ]
        for i, text in enumerate(lines):
            surface = self.font.render(text, True, constants.WHITE)
            self.screen.blit(surface, (x + 10, y + 10 + i * constants.OVERLAY_LINE_SPACING))
