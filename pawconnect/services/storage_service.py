# pawconnect/services/storage_service.py
import time
import logging
from typing import Optional
from urllib.parse import unquote
from flask import Flask
from firebase_admin import storage
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

# 업로드 용도별로 사용하는 Storage 폴더
STORAGE_FOLDERS = {
    "avatar": "avatars",
    "pet_image": "pet-images",
    "post_image": "post-images",
    "event_image": "event-images",
    "message_image": "message-images",
}

DEFAULT_MAX_IMAGE_SIZE = 5 * 1024 * 1024

class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    이미지 파일 검증, 업로드 후 공개 URL 발급, 공개 URL 기반 삭제를 제공합니다.
    """

    def __init__(self, bucket=None):
        """
        버킷은 init_app 에서 설정하거나, 테스트처럼 외부에서 직접 주입할 수 있습니다.
        """
        self.bucket = bucket
        self.max_image_size = DEFAULT_MAX_IMAGE_SIZE

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        self.max_image_size = app.config.get('MAX_IMAGE_SIZE', DEFAULT_MAX_IMAGE_SIZE)
        if self.bucket is not None:
            return

        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def validate_image(self, file: Optional[FileStorage]) -> bytes:
        """
        업로드된 파일이 이미지이고 최대 크기 이하인지 확인한 뒤 내용을 반환합니다.

        :raises ValueError: 파일이 없거나, 이미지가 아니거나, 너무 큰 경우
        """
        if file is None or not file.filename:
            raise ValueError("업로드할 파일이 없습니다.")

        if not (file.mimetype or '').startswith('image/'):
            raise ValueError("유효한 이미지 파일을 선택해주세요.")

        data = file.read()
        if len(data) > self.max_image_size:
            raise ValueError(f"이미지는 최대 {self.max_image_size // (1024 * 1024)}MB 까지 업로드할 수 있습니다.")
        return data

    def upload_image(self, upload_type: str, owner_id: str, file: Optional[FileStorage]) -> str:
        """
        이미지를 검증하고 용도별 폴더에 업로드한 뒤 공개 URL을 반환합니다.

        :param upload_type: STORAGE_FOLDERS 의 키 (예: "message_image")
        :param owner_id: 경로 구분에 사용할 사용자(또는 반려동물) ID
        :param file: 요청으로 들어온 파일 객체
        :return: 공개적으로 접근 가능한 URL
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        folder = STORAGE_FOLDERS.get(upload_type)
        if not folder:
            raise ValueError(f"'{upload_type}'은(는) 유효한 업로드 타입이 아닙니다.")

        data = self.validate_image(file)
        filename = secure_filename(file.filename) or "image"
        destination_blob_name = f"{folder}/{owner_id}/{int(time.time() * 1000)}-{filename}"

        blob = self.bucket.blob(destination_blob_name)
        blob.cache_control = "public, max-age=3600"
        blob.upload_from_string(data, content_type=file.mimetype)
        blob.make_public()
        logging.info(f"이미지 업로드 완료: {destination_blob_name}")
        return blob.public_url

    def delete_by_public_url(self, url: str) -> bool:
        """
        공개 URL로부터 파일 경로를 추출하여 Storage 객체를 삭제합니다.
        이 버킷의 URL이 아니거나 파일이 없으면 False 를 반환합니다.
        """
        if not self.bucket or not url:
            return False

        prefix = f"https://storage.googleapis.com/{self.bucket.name}/"
        if not url.startswith(prefix):
            return False

        file_path = unquote(url.split("?")[0][len(prefix):])
        blob = self.bucket.blob(file_path)
        if not blob.exists():
            return False
        blob.delete()
        return True
