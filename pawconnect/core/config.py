# pawconnect/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.
from datetime import timedelta

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. API가 직접 발급하는 access/refresh 토큰의 위변조를 방지합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    # 이메일/비밀번호 로그인은 Firebase Auth REST API로 위임하며, 이때 웹 API 키가 필요합니다.
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')

    # 서비스 등록 폼의 주소 자동완성에 사용하는 Nominatim API
    NOMINATIM_URL = os.getenv('NOMINATIM_URL', 'https://nominatim.openstreetmap.org/search')
    NOMINATIM_USER_AGENT = os.getenv('NOMINATIM_USER_AGENT', 'PawConnectApp/1.0 (support@pawconnect.com)')

    # 이벤트 초대 메시지에 들어가는 프론트엔드 주소
    APP_ORIGIN = os.getenv('APP_ORIGIN', 'http://localhost:5173')

    MAX_IMAGE_SIZE = 5 * 1024 * 1024
    MESSAGE_PAGE_SIZE = 50
    FEED_PAGE_SIZE = 10

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'pawconnect-testing-secret')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = 'pawconnect-test.appspot.com'
    FIREBASE_WEB_API_KEY = 'test-web-api-key'
    APP_ORIGIN = 'https://pawconnect.test'

class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 고릅니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
