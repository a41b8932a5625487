import logging

from flask import Flask, render_template
from flask_login import current_user

from collegeportal import session_store
from collegeportal.backend import init_backend
from collegeportal.config import Config
from collegeportal.extensions import csrf, login_manager, socketio
from collegeportal.services.grades import stars
from collegeportal.services.leave import day_part_label, type_label
from collegeportal.services.schedule import event_days, minutes_to_12h


def create_app(config_class=Config, backend_session=None):
    app = Flask(__name__, template_folder='../templates', static_folder='../static')
    app.config.from_object(config_class)

    logging.basicConfig(level=app.config['LOG_LEVEL'],
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions
    socketio.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    session_store.init_app(app)
    init_backend(app, session=backend_session)

    # Request loader and socket handlers register themselves on import
    from collegeportal import models, events  # noqa: F401
    from collegeportal.routes.auth import auth
    from collegeportal.routes.admin import admin
    from collegeportal.routes.teacher import teacher
    from collegeportal.routes.student import student

    app.register_blueprint(auth)
    app.register_blueprint(admin, url_prefix='/admin')
    app.register_blueprint(teacher, url_prefix='/teacher')
    app.register_blueprint(student, url_prefix='/student')

    app.add_template_filter(minutes_to_12h, 'time12')
    app.add_template_filter(event_days, 'event_days')
    app.add_template_filter(day_part_label, 'day_part')
    app.add_template_filter(type_label, 'leave_type')
    app.add_template_filter(stars, 'stars')

    @app.context_processor
    def inject_user():
        return {
            'user': current_user,
            'badge_max': app.config['LEAVE_BADGE_MAX'],
        }

    @app.errorhandler(404)
    def not_found(error):
        return render_template('error.html', code=404, message='Page not found'), 404

    @app.errorhandler(500)
    def server_error(error):
        app.logger.exception('Unhandled error: %s', error)
        return render_template('error.html', code=500, message='Something went wrong. Please try again.'), 500

    return app
