from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.serializers.shop import CartLineSerializer
from core.services import cart as cart_service


def _cart_response(cart, message=None):
    payload = {'ok': True, 'cart': cart_service.serialize_cart(cart)}
    if message:
        payload['message'] = message
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_cart(request):
    return _cart_response(cart_service.get_cart(request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def add_to_cart(request):
    s = CartLineSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    cart = cart_service.add_item(request.user, s.validated_data['medicineId'], s.validated_data['quantity'])
    return _cart_response(cart, 'Added to cart')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_cart_item(request):
    s = CartLineSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    cart = cart_service.update_item(request.user, s.validated_data['medicineId'], s.validated_data['quantity'])
    return _cart_response(cart, 'Cart updated')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def remove_from_cart(request, medicine_id: int):
    return _cart_response(cart_service.remove_item(request.user, medicine_id), 'Item removed')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def clear_cart(request):
    return _cart_response(cart_service.clear(request.user), 'Cart cleared')
