from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAdminRole
from core.serializers.shop import OrderStatusSerializer
from core.services import orders
from core.services.audit import log_action


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    return Response({'ok': True, 'orders': [orders.serialize_order(o) for o in orders.list_for_user(request.user)]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id: int):
    return Response({'ok': True, 'order': orders.serialize_order(orders.get_for_user(request.user, order_id))})


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_orders(request):
    """List orders. Query params: status, payment, sort=newest|oldest."""
    qs = orders.admin_list(
        status=request.query_params.get('status') or None,
        payment=request.query_params.get('payment') or None,
        sort=request.query_params.get('sort') or 'newest',
    )
    return Response({'ok': True, 'orders': [orders.serialize_order(o, with_user=True) for o in qs]})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_order_detail(request, order_id: int):
    if request.method == 'DELETE':
        orders.delete(order_id)
        log_action(user=request.user, action='order_delete', object_type='order', object_id=order_id)
        return Response({'ok': True, 'message': 'Order deleted'})
    return Response({'ok': True, 'order': orders.serialize_order(orders.admin_get(order_id), with_user=True)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_order_status(request, order_id: int):
    s = OrderStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = orders.update_status(order_id, s.validated_data['status'])
    log_action(user=request.user, action='order_status', object_type='order', object_id=order.id,
               detail={'status': order.order_status})
    return Response({'ok': True, 'message': 'Order status updated', 'order': orders.serialize_order(order)})
