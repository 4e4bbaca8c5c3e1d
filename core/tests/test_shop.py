from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from core.models import Cart, Medicine, Order, OrderItem

pytestmark = pytest.mark.django_db


def assert_total_consistent(user):
    cart = Cart.objects.get(user=user)
    expected = sum((i.price * i.quantity for i in cart.items.all()), Decimal('0.00'))
    assert cart.total_amount == expected
    return cart


# ---------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------
def test_empty_cart_shape(client_for, patient):
    r = client_for(patient).get('/api/cart')
    assert r.status_code == 200
    assert r.data['cart']['items'] == []
    assert r.data['cart']['totalAmount'] == '0.00'


def test_cart_total_tracks_every_mutation(client_for, patient, medicine, syrup):
    c = client_for(patient)
    c.post('/api/cart/add', {'medicineId': medicine.id, 'quantity': 2}, format='json')
    assert assert_total_consistent(patient).total_amount == Decimal('11.00')

    r = c.post('/api/cart/add', {'medicineId': medicine.id, 'quantity': 1}, format='json')
    assert r.data['cart']['items'][0]['quantity'] == 3
    c.post('/api/cart/add', {'medicineId': syrup.id}, format='json')
    assert assert_total_consistent(patient).total_amount == Decimal('19.75')

    c.put('/api/cart/update', {'medicineId': syrup.id, 'quantity': 4}, format='json')
    assert assert_total_consistent(patient).total_amount == Decimal('29.50')

    c.delete(f'/api/cart/remove/{medicine.id}')
    assert assert_total_consistent(patient).total_amount == Decimal('13.00')

    r = c.delete('/api/cart/clear')
    assert r.data['cart']['items'] == []
    assert assert_total_consistent(patient).total_amount == Decimal('0.00')


def test_cart_respects_stock(client_for, patient, syrup):
    c = client_for(patient)
    assert c.post('/api/cart/add', {'medicineId': syrup.id, 'quantity': 5}, format='json').status_code == 400
    assert c.post('/api/cart/add', {'medicineId': syrup.id, 'quantity': 4}, format='json').status_code == 200
    assert c.post('/api/cart/add', {'medicineId': syrup.id, 'quantity': 1}, format='json').status_code == 400
    assert c.put('/api/cart/update', {'medicineId': syrup.id, 'quantity': 9}, format='json').status_code == 400


def test_cart_update_picks_up_current_price(client_for, patient, medicine):
    c = client_for(patient)
    c.post('/api/cart/add', {'medicineId': medicine.id, 'quantity': 1}, format='json')
    Medicine.objects.filter(id=medicine.id).update(price=Decimal('7.00'))

    r = c.put('/api/cart/update', {'medicineId': medicine.id, 'quantity': 2}, format='json')
    assert r.status_code == 200
    assert r.data['cart']['items'][0]['price'] == '7.00'
    assert assert_total_consistent(patient).total_amount == Decimal('14.00')


def test_cart_rejects_bad_input(client_for, patient, medicine):
    c = client_for(patient)
    assert c.post('/api/cart/add', {'medicineId': medicine.id, 'quantity': 0}, format='json').status_code == 400
    assert c.post('/api/cart/add', {'medicineId': 99999}, format='json').status_code == 404
    assert c.put('/api/cart/update', {'medicineId': medicine.id, 'quantity': 1}, format='json').status_code == 404
    medicine.is_deleted = True
    medicine.save()
    assert c.post('/api/cart/add', {'medicineId': medicine.id}, format='json').status_code == 404


# ---------------------------------------------------------------------
# Medicines
# ---------------------------------------------------------------------
def test_public_catalogue_hides_deleted(client_for, medicine, syrup):
    syrup.is_deleted = True
    syrup.save()
    c = client_for()
    r = c.get('/api/medicines')
    assert [m['name'] for m in r.data['medicines']] == ['Paracetamol']
    assert c.get(f'/api/medicines/{syrup.id}').status_code == 404
    assert c.get(f'/api/medicines/{medicine.id}').data['medicine']['price'] == '5.50'


def test_public_catalogue_filters(client_for, medicine, syrup):
    c = client_for()
    assert [m['id'] for m in c.get('/api/medicines', {'category': 'Syrup'}).data['medicines']] == [syrup.id]
    assert [m['id'] for m in c.get('/api/medicines', {'q': 'parac'}).data['medicines']] == [medicine.id]


def test_admin_medicine_crud(client_for, admin_user):
    c = client_for(admin_user)
    image = SimpleUploadedFile('pill.png', b'\x89PNG\r\n\x1a\n', content_type='image/png')
    r = c.post('/api/admin/medicines', {
        'name': 'Ibuprofen', 'category': 'Tablet', 'type': 'OTC', 'price': '7.00',
        'stockQuantity': 30, 'description': '<script>x</script>Pain relief', 'image': image,
    }, format='multipart')
    assert r.status_code == 201, r.data
    med_id = r.data['medicine']['id']
    med = Medicine.objects.get(id=med_id)
    assert med.image.name.startswith('medicines/')
    assert '<script>' not in med.description

    r = c.put(f'/api/admin/medicines/{med_id}', {'price': '6.50', 'stockQuantity': 25}, format='json')
    assert r.status_code == 200
    assert r.data['medicine']['price'] == '6.50'
    assert r.data['medicine']['name'] == 'Ibuprofen'

    assert c.delete(f'/api/admin/medicines/{med_id}').status_code == 200
    assert Medicine.objects.get(id=med_id).is_deleted is True
    listed = c.get('/api/admin/medicines').data['medicines']
    assert listed[0]['isDeleted'] is True


def test_admin_medicine_validation(client_for, admin_user):
    c = client_for(admin_user)
    r = c.post('/api/admin/medicines', {'name': 'X', 'category': 'Lozenge', 'type': 'OTC',
                                        'price': '1.00', 'stockQuantity': 1}, format='json')
    assert r.status_code == 400
    r = c.post('/api/admin/medicines', {'name': 'X', 'category': 'Tablet', 'type': 'OTC',
                                        'price': '-1.00', 'stockQuantity': 1}, format='json')
    assert r.status_code == 400
    assert c.get('/api/admin/medicines/99999').status_code == 404


def test_admin_medicine_endpoints_need_admin(client_for, patient):
    assert client_for(patient).get('/api/admin/medicines').status_code == 403


# ---------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------
@pytest.fixture
def order(patient, medicine):
    o = Order.objects.create(user=patient, total_amount=Decimal('11.00'), payment_status='paid',
                             order_status='processing', transaction_id='pi_order', invoice_number='ORD-26-12345')
    OrderItem.objects.create(order=o, medicine=medicine, name=medicine.name, price=medicine.price, quantity=2)
    return o


def test_my_orders_and_detail(client_for, patient, other_patient, admin_user, order):
    r = client_for(patient).get('/api/orders/my')
    assert [o['id'] for o in r.data['orders']] == [order.id]
    assert r.data['orders'][0]['items'][0]['quantity'] == 2
    assert client_for(patient).get(f'/api/orders/{order.id}').status_code == 200
    assert client_for(other_patient).get(f'/api/orders/{order.id}').status_code == 403
    assert client_for(admin_user).get(f'/api/orders/{order.id}').status_code == 200
    assert client_for(other_patient).get('/api/orders/my').data['orders'] == []


def test_admin_order_management(client_for, admin_user, order):
    c = client_for(admin_user)
    assert len(c.get('/api/admin/orders', {'status': 'processing'}).data['orders']) == 1
    assert c.get('/api/admin/orders', {'status': 'shipped'}).data['orders'] == []
    assert c.get('/api/admin/orders', {'payment': 'paid', 'sort': 'oldest'}).status_code == 200

    r = c.put(f'/api/admin/orders/{order.id}/status', {'status': 'shipped'}, format='json')
    assert r.status_code == 200
    assert Order.objects.get(id=order.id).order_status == 'shipped'
    assert c.put(f'/api/admin/orders/{order.id}/status', {'status': 'lost'}, format='json').status_code == 400

    assert c.get(f'/api/admin/orders/{order.id}').data['order']['user']['email'] == 'pat@example.com'
    assert c.delete(f'/api/admin/orders/{order.id}').status_code == 200
    assert not Order.objects.filter(id=order.id).exists()
    assert c.delete(f'/api/admin/orders/{order.id}').status_code == 404
