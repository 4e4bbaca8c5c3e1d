from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAdminRole
from core.serializers.shop import MedicineWriteSerializer
from core.services import medicines
from core.services.audit import log_action


@api_view(['GET'])
@permission_classes([AllowAny])
def list_medicines(request):
    qs = medicines.list_public(
        category=request.query_params.get('category') or None,
        q=(request.query_params.get('q') or '').strip() or None,
    )
    return Response({'ok': True, 'medicines': [medicines.serialize_medicine(m) for m in qs]})


@api_view(['GET'])
@permission_classes([AllowAny])
def medicine_detail(request, medicine_id: int):
    return Response({'ok': True, 'medicine': medicines.serialize_medicine(medicines.get_public(medicine_id))})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_medicines(request):
    if request.method == 'GET':
        items = medicines.admin_list()
        return Response({'ok': True, 'medicines': [medicines.serialize_medicine(m, admin=True) for m in items]})
    s = MedicineWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    med = medicines.create(s.validated_data, request.FILES.get('image'))
    log_action(user=request.user, action='medicine_create', object_type='medicine', object_id=med.id)
    return Response({'ok': True, 'medicine': medicines.serialize_medicine(med, admin=True)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_medicine_detail(request, medicine_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'medicine': medicines.serialize_medicine(medicines.admin_get(medicine_id), admin=True)})
    if request.method == 'DELETE':
        medicines.soft_delete(medicine_id)
        log_action(user=request.user, action='medicine_delete', object_type='medicine', object_id=medicine_id)
        return Response({'ok': True, 'message': 'Medicine deleted'})
    s = MedicineWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    med = medicines.update(medicine_id, s.validated_data, request.FILES.get('image'))
    log_action(user=request.user, action='medicine_update', object_type='medicine', object_id=med.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'medicine': medicines.serialize_medicine(med, admin=True)})
