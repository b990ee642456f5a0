import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizroom.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Browser front-ends allowed to call the API and open sockets
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',') if o.strip()]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Room eviction delays (seconds) after a match ends / after the host drops
    ROOM_EVICT_DELAY_SEC = int(os.environ.get('ROOM_EVICT_DELAY_SEC', '60'))
    HOST_LOSS_EVICT_DELAY_SEC = int(os.environ.get('HOST_LOSS_EVICT_DELAY_SEC', '5'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
