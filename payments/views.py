import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, views, viewsets
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .gateways import (
    Gateway,
    GatewayConnectionError,
    GatewayException,
    InvalidRequestError,
    PortNotFoundError,
    RetryError,
    TransactionNotFoundError,
    VendorError,
    get_gateway,
)
from .models import Transaction
from .serializers import PaymentRequestSerializer, TransactionSerializer

logger = logging.getLogger(__name__)


class PaymentRequestView(views.APIView):
    """
    Start a payment through a port.

    POST /api/payments/requests/
    Request body:
        - port (str): Gateway name, e.g. 'novinpal'
        - amount (int): Amount in the caller's unit
        - callback_url (str, optional): Where the gateway returns the payer
        - description (str, optional)
        - card_number (str, optional): Only allow this card

    Response:
        - transaction_id, port, ref_id
        - redirect_url (str): URL to send the payer to
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            port = get_gateway(data['port'], request=request)
            port.set_amount(data['amount'])
            if data.get('callback_url'):
                port.set_callback(data['callback_url'])
            if data.get('description'):
                port.set_description(data['description'])
            if data.get('card_number'):
                port.set_valid_card_number(data['card_number'])

            port.ready()

        except VendorError as e:
            return Response(
                {
                    'error': e.message,
                    'error_code': str(e.error_code),
                    'transaction_id': e.transaction.pk if e.transaction else None,
                },
                status=status.HTTP_400_BAD_REQUEST
            )
        except GatewayConnectionError as e:
            return Response({'error': e.message}, status=status.HTTP_502_BAD_GATEWAY)
        except GatewayException as e:
            return Response(
                {'error': e.message, 'error_code': e.error_code},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response(
            {
                'transaction_id': port.transaction_id,
                'port': port.port_name,
                'ref_id': port.ref_id,
                'redirect_url': port.redirect(),
            },
            status=status.HTTP_201_CREATED
        )


class PaymentCallbackView(views.APIView):
    """
    Gateway callback endpoint.

    GET|POST /api/payments/callback/?transaction_id=<id>
    The gateway redirects the payer here; the transaction is verified and
    its final state returned.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return self.handle_callback(request)

    def post(self, request):
        return self.handle_callback(request)

    def handle_callback(self, request):
        try:
            result = Gateway(request=request).settle()

        except InvalidRequestError as e:
            return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)
        except TransactionNotFoundError as e:
            return Response({'error': e.message}, status=status.HTTP_404_NOT_FOUND)
        except RetryError as e:
            return Response(
                {
                    'error': e.message,
                    'transaction': TransactionSerializer(e.transaction).data if e.transaction else None,
                },
                status=status.HTTP_409_CONFLICT
            )
        except GatewayConnectionError as e:
            return Response({'error': e.message}, status=status.HTTP_502_BAD_GATEWAY)
        except PortNotFoundError as e:
            logger.error(f"Callback for unsupported port: {e.message}")
            return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)
        except GatewayException as e:
            return Response(
                {'error': e.message, 'error_code': e.error_code},
                status=status.HTTP_400_BAD_REQUEST
            )

        transaction_data = TransactionSerializer(result.transaction).data if result.transaction else None
        if result.success:
            return Response(
                {
                    'success': True,
                    'tracking_code': result.tracking_code,
                    'card_number': result.card_number,
                    'transaction': transaction_data,
                },
                status=status.HTTP_200_OK
            )

        return Response(
            {
                'success': False,
                'error': result.error_message,
                'error_code': result.error_code,
                'transaction': transaction_data,
            },
            status=status.HTTP_400_BAD_REQUEST
        )


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for viewing gateway transactions.

    list: Returns transactions, optionally filtered by status, port,
          ref_id or tracking_code
    retrieve: Gets a specific transaction with its logs
    """
    serializer_class = TransactionSerializer
    permission_classes = [IsAdminUser]
    queryset = Transaction.objects.prefetch_related('logs')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['ref_id', 'tracking_code']
    ordering_fields = ['created_at', 'price']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = super().get_queryset()

        # Status and port are matched case-insensitively
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())

        port_filter = self.request.query_params.get('port')
        if port_filter:
            queryset = queryset.filter(port=port_filter.upper())

        return queryset
