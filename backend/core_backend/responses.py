from rest_framework import status as http_status
from rest_framework.response import Response

from core_backend.exceptions import ErrorCodes


def success_response(data=None, message="Success", status=http_status.HTTP_200_OK):
    """``{code: 1000, message, data}``, the same envelope RPC replies use."""
    return Response(
        {
            'code': ErrorCodes.SUCCESS.code,
            'message': message,
            'data': data,
        },
        status=status,
    )


def paginated(items, total, page, limit):
    return {
        'items': items,
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': (total + limit - 1) // limit if limit else 0,
    }
