from yumrun import create_app, socketio
from config import DevelopmentConfig

# CLI commands (setup-db, seed, process-expired-points) are registered by create_app
app = create_app(DevelopmentConfig)

if __name__ == '__main__':
    socketio.run(app, debug=app.config['DEBUG'])
