from flask_socketio import SocketIO
from flask_login import LoginManager
from flask_wtf import CSRFProtect

socketio = SocketIO(cors_allowed_origins="*")
login_manager = LoginManager()
login_manager.login_message = 'Please sign in to continue.'
login_manager.login_message_category = 'warning'
csrf = CSRFProtect()
