# pawconnect/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from dataclasses import asdict
from firebase_admin import firestore, auth as firebase_auth
from flask import Flask

from pawconnect.models.user import User
from pawconnect.services.firebase_auth_service import FirebaseAuthService, FirebaseAuthError
from pawconnect.utils.datetime_utils import DateTimeUtils

class AccountSetupIncompleteError(Exception):
    """Firebase Auth 계정은 있지만 users 프로필 문서가 없는 경우."""

class AuthService:
    """
    회원가입/로그인/로그아웃을 담당합니다.
    계정과 비밀번호 검증은 Firebase Authentication 이 소유하고,
    여기서는 users 프로필 문서와 토큰 무효화 목록만 관리합니다.
    """
    def __init__(self):
        self.db = None
        self.users_ref = None
        self.revoked_tokens_ref = None
        self.password_auth: Optional[FirebaseAuthService] = None
        self.app: Optional[Flask] = None

    def init_app(self, app: Flask, db=None):
        """앱 초기화 과정에서 호출되어 DB 연결 및 앱 컨텍스트를 설정합니다."""
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.revoked_tokens_ref = self.db.collection('revoked_tokens')
        self.password_auth = FirebaseAuthService(app.config.get('FIREBASE_WEB_API_KEY'))
        self.app = app

    def _get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self.users_ref.document(user_id).get()
        return doc.to_dict() if doc.exists else None

    def _create_profile(self, user_id: str, email: str, username: str, location: Dict[str, Any]) -> Dict[str, Any]:
        new_user = User(
            user_id=user_id,
            email=email,
            username=username,
            ville=location.get('ville') or None,
            code_postal=location.get('code_postal') or None,
            pays=location.get('pays') or None,
            created_at=DateTimeUtils.now()
        )
        user_data = DateTimeUtils.for_firestore(asdict(new_user))
        self.users_ref.document(user_id).set(user_data)
        return user_data

    # --- 회원가입 / 로그인 ---
    def sign_up(self, email: str, password: str, username: str, location: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Firebase Auth 계정을 만들고 users 프로필 문서를 생성합니다.
        - 이미 가입된 이메일이지만 프로필이 없는 경우, 비밀번호를 확인한 뒤 프로필만 생성합니다.
        - 프로필 생성에 실패하면 새로 만든 Auth 계정을 삭제합니다.
        """
        location = location or {}
        try:
            user_record = firebase_auth.create_user(email=email, password=password)
        except firebase_auth.EmailAlreadyExistsError:
            return self._complete_existing_account(email, password, username, location)

        try:
            return self._create_profile(user_record.uid, email, username, location)
        except Exception as e:
            logging.error(f"프로필 생성 실패, Auth 계정 정리 (uid: {user_record.uid}): {e}", exc_info=True)
            firebase_auth.delete_user(user_record.uid)
            raise RuntimeError("계정 설정을 완료하지 못했습니다. 다시 시도해주세요.")

    def _complete_existing_account(self, email: str, password: str, username: str, location: Dict[str, Any]) -> Dict[str, Any]:
        try:
            auth_result = self.password_auth.sign_in_with_password(email, password)
        except FirebaseAuthError:
            raise ValueError("이미 가입된 이메일입니다. 로그인해주세요.")

        user_id = auth_result['localId']
        if self._get_profile(user_id) is not None:
            raise ValueError("이미 가입된 이메일입니다. 로그인해주세요.")

        logging.info(f"프로필이 없는 기존 계정의 프로필을 생성합니다 (uid: {user_id})")
        return self._create_profile(user_id, email, username, location)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        비밀번호를 Firebase Auth 로 검증하고 사용자 프로필을 반환합니다.

        :raises PermissionError: 이메일 또는 비밀번호가 틀린 경우
        :raises AccountSetupIncompleteError: 프로필 문서가 없는 경우
        """
        try:
            auth_result = self.password_auth.sign_in_with_password(email, password)
        except FirebaseAuthError as e:
            logging.info(f"로그인 실패 ({email}): {e.code}")
            raise PermissionError("이메일 또는 비밀번호가 올바르지 않습니다.")

        profile = self._get_profile(auth_result['localId'])
        if profile is None:
            raise AccountSetupIncompleteError(
                "계정 설정이 완료되지 않았습니다. 다시 가입하거나 고객센터에 문의해주세요."
            )
        return profile

    def get_current_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get_profile(user_id)

    # --- Blocklist 관련 로직 ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """전달받은 토큰의 jti를 만료 시간과 함께 Firestore에 저장합니다."""
        token_data = DateTimeUtils.for_firestore({
            'revoked_at': DateTimeUtils.now(),
            'expires_at': expires
        })
        self.revoked_tokens_ref.document(jti).set(token_data)

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """jti를 이용해 해당 토큰이 무효화 목록에 있는지 확인합니다."""
        jti = jwt_payload['jti']
        doc = self.revoked_tokens_ref.document(jti).get()
        return doc.exists

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Access 토큰과 Refresh 토큰을 모두 Blocklist에 추가합니다."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"사용자 로그아웃 처리 완료. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")

    # --- 회원 탈퇴 로직 ---
    def delete_user_account(self, user_id: str):
        """Firebase Auth 사용자와 users 프로필 문서를 삭제합니다."""
        try:
            firebase_auth.delete_user(user_id)
            logging.info(f"Firebase Auth 사용자 삭제 성공 (user_id: {user_id}).")
        except firebase_auth.UserNotFoundError:
            logging.warning(f"Firebase Auth에서 이미 삭제된 사용자입니다 (user_id: {user_id}).")
        self.users_ref.document(user_id).delete()

auth_service = AuthService()
