from flask import jsonify

from utils.errors import ErrorCode

def ok(result=None, status=200):
    return jsonify(code=int(ErrorCode.SUCCESS), result=result), status

def rejected(code: ErrorCode, message=None, status=200, **extra):
    return jsonify(code=int(code), message=message or code.message, **extra), status
