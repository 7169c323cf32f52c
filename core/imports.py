from flask import Flask, request, jsonify, Blueprint, current_app
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required, JWTManager, get_jwt
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import or_
from flask_migrate import Migrate
from flasgger import Swagger
from flask_cors import CORS
from datetime import datetime, timezone
from urllib.parse import urlparse, urlencode
import requests
import hashlib
import base64
import hmac
import json
import re
