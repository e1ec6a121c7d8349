# pawconnect/services/firebase_auth_service.py

import logging
import requests
from typing import Dict, Any

class FirebaseAuthError(Exception):
    """Firebase Auth REST API 가 오류 코드를 반환한 경우 (예: INVALID_PASSWORD)."""
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code

class FirebaseAuthService:
    """
    이메일/비밀번호 로그인을 Firebase Auth REST API로 위임하는 서비스 클래스입니다.
    Admin SDK는 비밀번호 검증을 제공하지 않으므로 identitytoolkit 엔드포인트를 직접 호출합니다.
    """
    _sign_in_url = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

    def __init__(self, api_key: str, timeout: float = 10.0):
        self.api_key = api_key
        self.timeout = timeout

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """
        이메일/비밀번호를 검증하고 Firebase 응답(localId, idToken 등)을 반환합니다.

        :raises FirebaseAuthError: 잘못된 자격 증명 등 Firebase 가 거부한 경우
        """
        if not self.api_key:
            raise RuntimeError("FIREBASE_WEB_API_KEY is not configured.")

        response = requests.post(
            self._sign_in_url,
            params={"key": self.api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=self.timeout
        )

        if response.status_code != 200:
            error_code = response.json().get("error", {}).get("message", "UNKNOWN_ERROR")
            logging.warning(f"Firebase 로그인 거부: {error_code}")
            raise FirebaseAuthError(error_code)

        return response.json()
