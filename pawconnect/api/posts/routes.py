# pawconnect/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from .schemas import PostCreateSchema, PostUpdateSchema, PostResponseSchema

posts_bp = Blueprint('posts_bp', __name__)

def _page_args():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config.get('FEED_PAGE_SIZE', 10), type=int)
    return page, limit

@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """반려동물 이름으로 새 게시글을 작성합니다."""
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        data = PostCreateSchema().load(request.get_json() or {})
        new_post = post_service.create_post(user_id, data)
        return jsonify(PostResponseSchema().dump(new_post)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "PET_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시글 생성 API 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "POST_CREATION_FAILED", "message": "게시글 생성 중 오류가 발생했습니다."}), 500

@posts_bp.route('', methods=['GET'])
@jwt_required()
def get_feed():
    """
    피드 게시글 목록을 페이지 단위로 조회합니다.
    - Query Params: page (기본 1), limit (기본 FEED_PAGE_SIZE)
    """
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    page, limit = _page_args()
    try:
        posts = post_service.get_feed(user_id, page, limit)
        return jsonify({"posts": PostResponseSchema(many=True).dump(posts), "page": page}), 200
    except Exception as e:
        logging.error(f"피드 조회 API 오류: {e}", exc_info=True)
        return jsonify({"error_code": "FEED_FETCH_FAILED", "message": "피드를 불러오는 중 오류가 발생했습니다."}), 500

@posts_bp.route('/pets/<string:pet_id>', methods=['GET'])
@jwt_required(optional=True)
def get_pet_posts(pet_id: str):
    """특정 반려동물의 게시글 목록을 조회합니다."""
    post_service = current_app.services['posts']
    page, limit = _page_args()
    try:
        posts = post_service.get_pet_posts(pet_id, get_jwt_identity(), page, limit)
        return jsonify({"posts": PostResponseSchema(many=True).dump(posts), "page": page}), 200
    except Exception as e:
        logging.error(f"반려동물 게시글 조회 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "게시글을 불러오는 중 오류가 발생했습니다."}), 500

@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    post_service = current_app.services['posts']
    try:
        post = post_service.get_post(post_id, get_jwt_identity())
        return jsonify(PostResponseSchema().dump(post)), 200
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시글 조회 API 오류 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "게시글을 불러오는 중 오류가 발생했습니다."}), 500

@posts_bp.route('/<string:post_id>', methods=['PATCH'])
@jwt_required()
def update_post(post_id: str):
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        data = PostUpdateSchema().load(request.get_json() or {})
        updated_post = post_service.update_post(post_id, user_id, data)
        return jsonify(PostResponseSchema().dump(updated_post)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시글 수정 API 오류 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "게시글 수정 중 오류가 발생했습니다."}), 500

@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """게시글과 좋아요, 댓글, 이미지를 함께 삭제합니다. (소유자 전용)"""
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        post_service.delete_post(post_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"게시글 삭제 API 오류 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "DELETE_FAILED", "message": "게시글 삭제 중 오류가 발생했습니다."}), 500

@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def like_post(post_id: str):
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        like = post_service.like_post(post_id, user_id)
        return jsonify({"like_id": like['like_id'], "post_id": post_id, "has_liked": True}), 201
    except ValueError as e:
        return jsonify({"error_code": "LIKE_FAILED", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"좋아요 API 오류 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LIKE_FAILED", "message": "좋아요 처리 중 오류가 발생했습니다."}), 500

@posts_bp.route('/<string:post_id>/like', methods=['DELETE'])
@jwt_required()
def unlike_post(post_id: str):
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        post_service.unlike_post(post_id, user_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "NOT_LIKED", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"좋아요 취소 API 오류 (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UNLIKE_FAILED", "message": "좋아요 취소 중 오류가 발생했습니다."}), 500

@posts_bp.route('/images', methods=['POST'])
@jwt_required()
def upload_post_image():
    """게시글 이미지를 업로드하고 공개 URL을 반환합니다 (multipart, 'file' 필드)."""
    user_id = get_jwt_identity()
    post_service = current_app.services['posts']
    try:
        url = post_service.upload_post_image(user_id, request.files.get('file'))
        return jsonify({"url": url}), 201
    except ValueError as e:
        return jsonify({"error_code": "INVALID_IMAGE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"게시글 이미지 업로드 API 오류: {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "이미지 업로드 중 서버 오류가 발생했습니다."}), 500
