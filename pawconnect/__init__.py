# pawconnect/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정
from pawconnect.core.config import config_by_name

# - API 블루프린트
from pawconnect.api.auth.routes import auth_bp
from pawconnect.api.users.routes import users_bp
from pawconnect.api.pets.routes import pets_bp
from pawconnect.api.posts.routes import posts_bp
from pawconnect.api.comments.routes import comments_bp
from pawconnect.api.friends.routes import friends_bp
from pawconnect.api.messages.routes import messages_bp
from pawconnect.api.events.routes import events_bp
from pawconnect.api.notifications.routes import notifications_bp
from pawconnect.api.directory.routes import directory_bp

# - 서비스 모듈
from pawconnect.services.storage_service import StorageService
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.geocoding_service import GeocodingService
from pawconnect.api.auth.services import auth_service
from pawconnect.api.users.services import UserService
from pawconnect.api.pets.services import PetService, FollowService
from pawconnect.api.posts.services import PostService
from pawconnect.api.comments.services import CommentService
from pawconnect.api.friends.services import FriendService
from pawconnect.api.messages.services import MessageService
from pawconnect.api.events.services import EventService
from pawconnect.api.directory.services import DirectoryService

def _init_firebase(app: Flask):
    """Firebase Admin SDK 를 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })

def create_app(config_name: str = None, db=None, bucket=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (기본값은 FLASK_ENV)
    :param db: Firestore 클라이언트. 주어지면 Firebase 초기화를 건너뜁니다. (테스트용)
    :param bucket: Storage 버킷. 주어지면 StorageService 가 그대로 사용합니다. (테스트용)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    jwt_manager = JWTManager(app)

    if db is None:
        _init_firebase(app)
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        storage_instance = StorageService(bucket=bucket)
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    app.services['notifications'] = NotificationService(db=db)
    app.services['geocoding'] = GeocodingService(
        base_url=app.config['NOMINATIM_URL'],
        user_agent=app.config['NOMINATIM_USER_AGENT']
    )

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['pets'] = PetService(storage_service=app.services['storage'], db=db)
    app.services['follows'] = FollowService(notification_service=app.services['notifications'], db=db)
    app.services['users'] = UserService(
        storage_service=app.services['storage'],
        pet_service=app.services['pets'],
        db=db
    )
    app.services['posts'] = PostService(
        storage_service=app.services['storage'],
        notification_service=app.services['notifications'],
        db=db
    )
    app.services['comments'] = CommentService(notification_service=app.services['notifications'], db=db)
    app.services['friends'] = FriendService(notification_service=app.services['notifications'], db=db)
    app.services['messages'] = MessageService(
        storage_service=app.services['storage'],
        db=db,
        page_size=app.config['MESSAGE_PAGE_SIZE']
    )
    app.services['events'] = EventService(
        storage_service=app.services['storage'],
        notification_service=app.services['notifications'],
        message_service=app.services['messages'],
        friend_service=app.services['friends'],
        db=db,
        app_origin=app.config['APP_ORIGIN']
    )
    app.services['directory'] = DirectoryService(geocoding_service=app.services['geocoding'], db=db)
    logging.info("Domain services initialized successfully")

    # - 인증 서비스 (앱 컨텍스트 필요)
    auth_service.init_app(app, db=db)

    @jwt_manager.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload: dict) -> bool:
        return auth_service.is_token_revoked(jwt_payload)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(comments_bp, url_prefix='/api')
    app.register_blueprint(friends_bp, url_prefix='/api/friends')
    app.register_blueprint(messages_bp, url_prefix='/api/messages')
    app.register_blueprint(events_bp, url_prefix='/api/events')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(directory_bp, url_prefix='/api/services')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 404/405 같은 HTTP 예외는 상태 코드를 그대로 유지합니다.
        if isinstance(err, HTTPException):
            return jsonify({"error_code": err.name.upper().replace(' ', '_'), "message": err.description}), err.code
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
