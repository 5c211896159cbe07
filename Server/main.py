"""
Word Duel Server - Main Entry Point

This is the main entry point for the Word Duel server.
It creates the application, starts the background sweeper and runs the
Flask-SocketIO server.
"""

import logging
import threading
import time

from word_duel import create_app
from word_duel.config import Config, validate_word_list_integrity, get_word_statistics
from word_duel.utils.match_logger import match_logger


def sweeper_worker(app):
    """
    Background worker that settles abandoned matches and purges stale queue
    entries every SWEEP_INTERVAL_SECONDS. It also re-arms AI turns for
    single-player matches whose timer was lost (for example after a restart).
    """
    interval = app.config['SWEEP_INTERVAL_SECONDS']
    services = app.services
    print(f"Sweeper started - checking every {interval} seconds")
    while True:
        try:
            purged = services.matchmaking.purge_all()
            if purged:
                match_logger.logger.info(f"Sweeper: removed {purged} expired queue entries")

            still_active = services.match_service.sweep_active_matches()
            for match in still_active:
                services.scheduler.schedule(match)
        except Exception as e:
            match_logger.logger.error(f"Error in sweeper worker: {e}")

        time.sleep(interval)


def main():
    """Main function to create the app and start the server."""
    logging.basicConfig(level=Config.LOG_LEVEL)
    try:
        print("Validating word lists...")
        validate_word_list_integrity()
        stats = get_word_statistics()
        print(f"✓ Word lists loaded: { {n: s['total_words'] for n, s in stats.items()} }")

        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application and services created successfully")
        print(f"Store: {type(app.services.store).__name__}")

        sweeper_thread = threading.Thread(target=sweeper_worker, args=(app,), daemon=True)
        sweeper_thread.start()

        match_logger.logger.info("Word Duel Server Starting")

        print(f"\nStarting Word Duel Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print(f"AI scheduler enabled: {Config.AI_SCHEDULER_ENABLED}")
        print("=" * 50)

        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        match_logger.logger.info("Word Duel Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        match_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
