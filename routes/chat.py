from core.imports import Blueprint, jsonify, request, current_app, jwt_required, get_jwt_identity, requests, json, re

chat_bp = Blueprint("chat", __name__)

BOLD_MARKERS = re.compile(r"\*\*(.+?)\*\*")
REPLY_KEYS = ("response", "message", "text")


def reply_text(payload):
    """The assistant's answer from whatever shape the chat workflow replied with."""
    if isinstance(payload, list):
        if not payload:
            return None
        payload = payload[0]
        if not isinstance(payload, dict):
            return str(payload)
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        for key in REPLY_KEYS:
            if payload.get(key):
                return payload[key]
        return json.dumps(payload, ensure_ascii=False)
    return None


def strip_bold(text):
    return BOLD_MARKERS.sub(r"\1", text)


@chat_bp.route("/api/chat", methods=["POST"])
@jwt_required()
def chat():
    """
    Ask the marketplace assistant a question
    ---
    tags:
      - Chat
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required: [message]
          properties:
            message:
              type: string
              example: "이번 주 사과 시세 알려줘"
            conversationHistory:
              type: array
              items:
                type: object
    responses:
      200:
        description: The assistant's reply
        schema:
          type: object
          properties:
            response:
              type: string
      400:
        description: message is missing or blank
      401:
        description: Missing or invalid token
      500:
        description: Chat service not configured or unreachable
    """
    data = request.get_json(silent=True) or {}
    message = data.get("message") if isinstance(data, dict) else None
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": "A message is required."}), 400

    webhook_url = current_app.config.get("N8N_WEBHOOK_URL")
    if not webhook_url:
        current_app.logger.error("N8N_WEBHOOK_URL is not configured")
        return jsonify({"error": "The chat service is not configured."}), 500

    user_id = get_jwt_identity()
    try:
        upstream = requests.post(webhook_url, json={
            "message": message.strip(),
            "userId": user_id,
            "conversationHistory": data.get("conversationHistory") or [],
        }, timeout=current_app.config.get("CHAT_TIMEOUT", 30))
    except requests.RequestException as e:
        current_app.logger.exception("Chat workflow request failed for %s", user_id)
        return jsonify({"error": "Failed to reach the chat service.", "details": str(e)}), 500

    if not upstream.ok:
        current_app.logger.warning("Chat workflow answered %s for %s", upstream.status_code, user_id)
        return jsonify({
            "error": "The chat service returned an error.",
            "details": f"Chat workflow error: {upstream.status_code} {upstream.reason or ''}".strip(),
        }), 500

    try:
        payload = upstream.json()
    except ValueError:
        payload = upstream.text

    answer = reply_text(payload)
    if not answer:
        current_app.logger.warning("Chat workflow reply had no text for %s", user_id)
        return jsonify({"error": "The chat service returned an empty reply."}), 500

    if not isinstance(answer, str):
        answer = json.dumps(answer, ensure_ascii=False)
    return jsonify({"response": strip_bold(answer)}), 200
