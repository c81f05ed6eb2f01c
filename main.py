# main.py

import pygame
import constants
import json
import logging
import logger_setup
import numpy as np
from particle_system import ParticleSystem
from renderer import Renderer

# Get the application's dedicated logger
logger = logging.getLogger("particle_web")

import cProfile, pstats

KEY_BINDINGS = {
    pygame.K_r: 'toggle_repulsion',
    pygame.K_a: 'request_add',
    pygame.K_d: 'request_remove',
    pygame.K_q: 'toggle_quadtree',
    pygame.K_SPACE: 'request_reset',
}


def handle_events(particle_system, renderer):
    """
    Translates pygame events into simulation requests. Returns False when the
    window was closed. Structural requests are only queued here; the system
    applies them at the start of its next step.
    """
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            action = KEY_BINDINGS.get(event.key)
            if action is not None:
                getattr(particle_system, action)()
        elif event.type == pygame.VIDEORESIZE:
            screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
            renderer.resize(screen)
            particle_system.resize(event.w, event.h)

    mouse_x, mouse_y = pygame.mouse.get_pos()
    particle_system.set_pointer(mouse_x, mouse_y, pygame.mouse.get_pressed()[0])
    return True


def run_simulation_loop(particle_system, renderer, clock, max_ticks=None):
    """The main simulation loop. Runs until the window closes or max_ticks is reached."""
    running = True
    tick = 0
    fps = 0.0

    while running and (max_ticks is None or tick < max_ticks):
        running = handle_events(particle_system, renderer)

        frame = particle_system.step()

        if tick % constants.FPS_UPDATE_INTERVAL == 0:
            fps = clock.get_fps()

        # --- Logging (throttled) ---
        if tick % 100 == 0:
            qtree = particle_system.qtree
            logger.debug(
                f"Tick={tick}, "
                f"Particles={frame.particle_count}, "
                f"Connections={len(frame.connections)}, "
                f"QuadTreeNodes={qtree.node_count() if qtree is not None and particle_system.use_quadtree else 0}, "
                f"FPS={fps:.1f}"
            )

        renderer.draw(frame, particle_system.repulsion_mode, fps)
        pygame.display.flip()
        clock.tick(constants.FPS)
        tick += 1


def main():
    """
    Main function to initialize and run the particle simulation.
    When profiling is enabled in config.json the loop runs for a fixed number
    of ticks under cProfile and the top entries are printed.
    """
    # --- Setup ---
    logger_setup.setup_logging()

    with open('config.json', 'r') as f:
        config = json.load(f)
    sim_config = config['simulation']
    profiling = config.get('profiling', {})

    logger.info("Application starting...")
    logger.info(f"Loaded configuration: {config}")

    # Initialize the master random number generator (RNG)
    rng = np.random.default_rng(config['master_seed'])
    logger.info(f"Master RNG initialized with seed: {config['master_seed']}")

    # --- Initialization ---
    pygame.init()
    screen = pygame.display.set_mode((constants.WIDTH, constants.HEIGHT), pygame.RESIZABLE)
    pygame.display.set_caption(constants.TITLE)
    clock = pygame.time.Clock()

    particle_system = ParticleSystem(
        num_particles=sim_config['particle_count'],
        config=sim_config,
        rng=rng,
        bounds=(constants.WIDTH, constants.HEIGHT)
    )
    renderer = Renderer(screen)

    if profiling.get('enabled', False):
        profiler = cProfile.Profile()
        profiler.enable()
        run_simulation_loop(particle_system, renderer, clock, max_ticks=profiling.get('ticks', 3000))
        profiler.disable()
        logger.info("Profiling complete. Printing stats...")
        stats = pstats.Stats(profiler).sort_stats('cumtime')
        stats.print_stats(20)
    else:
        run_simulation_loop(particle_system, renderer, clock)

    logger.info("Application shutting down.")
    pygame.quit()

if __name__ == "__main__":
    main()
