# pawconnect/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity
)
from marshmallow import ValidationError

from pawconnect.api.auth.schemas import SignUpSchema, SignInSchema, LogoutRequestSchema
from pawconnect.api.users.schemas import UserPrivateResponseSchema
from .services import auth_service, AccountSetupIncompleteError

auth_bp = Blueprint('auth_bp', __name__)

def _token_response(user: dict, status: int):
    identity = user['user_id']
    return jsonify({
        "access_token": create_access_token(identity=identity),
        "refresh_token": create_refresh_token(identity=identity),
        "user": UserPrivateResponseSchema().dump(user)
    }), status


@auth_bp.route('/signup', methods=['POST'])
def sign_up():
    """이메일/비밀번호 회원가입. 성공 시 프로필과 토큰을 함께 반환합니다."""
    try:
        data = SignUpSchema().load(request.get_json() or {})
        location = {key: data.get(key) for key in ('ville', 'code_postal', 'pays')}
        user = auth_service.sign_up(data['email'], data['password'], data['username'], location)
        return _token_response(user, 201)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "EMAIL_ALREADY_EXISTS", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"회원가입 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "SIGNUP_FAILED", "message": "계정 설정을 완료하지 못했습니다. 다시 시도해주세요."}), 500


@auth_bp.route('/signin', methods=['POST'])
def sign_in():
    """이메일/비밀번호 로그인."""
    try:
        data = SignInSchema().load(request.get_json() or {})
        user = auth_service.sign_in(data['email'], data['password'])
        return _token_response(user, 200)
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "INVALID_CREDENTIALS", "message": str(e)}), 401
    except AccountSetupIncompleteError as e:
        return jsonify({"error_code": "ACCOUNT_SETUP_INCOMPLETE", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    """현재 로그인된 사용자의 프로필을 반환합니다."""
    user = auth_service.get_current_user(get_jwt_identity())
    if not user:
        return jsonify({"error_code": "ACCOUNT_SETUP_INCOMPLETE", "message": "프로필을 찾을 수 없습니다."}), 404
    return jsonify(UserPrivateResponseSchema().dump(user)), 200


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True) # Refresh Token만 허용하는 데코레이터
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


# --- 로그아웃 엔드포인트 ---
@auth_bp.route('/logout', methods=['POST'])
def logout():
    """로그아웃. 전달받은 Access/Refresh 토큰을 무효화 목록에 추가합니다."""
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})

        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # 만료된 토큰도 무효화할 수 있도록 만료 검증은 끕니다.
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.logout_user(
            decoded_access['jti'], decoded_access['exp'],
            decoded_refresh['jti'], decoded_refresh['exp']
        )
        return jsonify({"message": "로그아웃 되었습니다."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"JWT 해독 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "유효하지 않은 토큰입니다."}), 422
    except Exception as e:
        logging.error(f"로그아웃 처리 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "로그아웃 처리 중 오류가 발생했습니다."}), 500
